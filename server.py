#!/usr/bin/env python3
"""Thin runner for the analysis server; delegates to `cleaning_cards.main`.

Kept so `python server.py` works for local development.
"""
import sys
from cleaning_cards.main import main


if __name__ == "__main__":
    sys.exit(main(["serve", *sys.argv[1:]]))
