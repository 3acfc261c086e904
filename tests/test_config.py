"""Tests for the pydantic client configuration."""

import pytest
from pydantic import ValidationError

from ircterm.config import ClientConfig
from ircterm.irc.models import SessionInfo


class TestClientConfig:
    def test_defaults(self):
        config = ClientConfig()
        assert config.nick == "meager-irc-client"
        assert config.user == "guest"
        assert config.realname == "Meager"
        assert config.port == 6667
        assert config.history_limit == 0
        assert config.auto_open_queries is False

    def test_from_env(self):
        """Environment variables override the defaults."""
        config = ClientConfig.from_env(
            {
                "IRC_NICK": "  bob ",
                "IRC_USER": "bobby",
                "IRC_REAL": "Bob Builder",
                "IRC_PORT": "6697",
                "IRC_HISTORY_LIMIT": "500",
                "IRC_AUTO_OPEN_QUERIES": "yes",
                "IRC_LOG_FILE": "",
            }
        )
        assert config.nick == "bob"
        assert config.user == "bobby"
        assert config.realname == "Bob Builder"
        assert config.port == 6697
        assert config.history_limit == 500
        assert config.auto_open_queries is True
        assert config.log_file is None

    def test_from_env_empty_mapping_uses_defaults(self):
        assert ClientConfig.from_env({}) == ClientConfig()

    @pytest.mark.parametrize("nick", ["two words", "", ":colon"])
    def test_invalid_nick(self, nick):
        with pytest.raises(ValidationError):
            ClientConfig(nick=nick)

    def test_invalid_port(self):
        with pytest.raises(ValidationError):
            ClientConfig.from_env({"IRC_PORT": "70000"})

    def test_frozen(self):
        config = ClientConfig()
        with pytest.raises(ValidationError):
            config.nick = "other"


class TestSessionInfo:
    def test_host_only_uses_default_port(self):
        info = ClientConfig(nick="tester").session_info("irc.example.net")
        assert info == SessionInfo(
            address="irc.example.net",
            port=6667,
            nick="tester",
            user="guest",
            realname="Meager",
        )
        assert info.name == "irc.example.net"

    def test_host_and_port(self):
        info = ClientConfig().session_info("irc.example.net:6697")
        assert (info.address, info.port) == ("irc.example.net", 6697)

    @pytest.mark.parametrize("address", ["host:", "host:abc", "host:0", "host:99999", ":6667"])
    def test_bad_address(self, address):
        with pytest.raises(ValueError):
            ClientConfig().session_info(address)
