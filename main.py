#!/usr/bin/env python3
"""Endurance entry point.

Run with:
    python main.py
    python -m endurance
"""

from endurance.__main__ import main


if __name__ == "__main__":
    main()
