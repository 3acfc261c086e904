from ircterm.constants import _get_env_float, _get_env_int


def test_get_env_int_valid_integer(monkeypatch):
    """Test parsing a valid integer from environment variable."""
    monkeypatch.setenv("TEST_VAR", "123")
    assert _get_env_int("TEST_VAR", 999) == 123


def test_get_env_int_invalid_string(monkeypatch, capsys):
    """Invalid values fall back to the default with a warning."""
    monkeypatch.setenv("TEST_VAR", "abc")
    assert _get_env_int("TEST_VAR", 999) == 999
    assert "Invalid integer value for TEST_VAR" in capsys.readouterr().out


def test_get_env_int_unset(monkeypatch):
    monkeypatch.delenv("TEST_VAR", raising=False)
    assert _get_env_int("TEST_VAR", 7) == 7


def test_get_env_float(monkeypatch):
    monkeypatch.setenv("TEST_VAR", "0.25")
    assert _get_env_float("TEST_VAR", 1.0) == 0.25
    monkeypatch.setenv("TEST_VAR", "soon")
    assert _get_env_float("TEST_VAR", 1.0) == 1.0
