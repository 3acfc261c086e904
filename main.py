#!/usr/bin/env python3
"""
Main entry point for the ircterm client
"""

from ircterm.ui.terminal import main

if __name__ == "__main__":
    main()
