#!/usr/bin/env python
"""
AirInk - Main Entry Point
=========================
Run the gesture drawing application.
"""

from pathlib import Path

# Load environment variables from .env file
from dotenv import load_dotenv
load_dotenv(Path(__file__).parent / ".env")

from airink.ui import main

if __name__ == "__main__":
    main()
