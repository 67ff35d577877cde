#!/usr/bin/env python3
"""
Launcher script for the MITS11 installer.
Run this script to download and start the installer.
"""

import sys
import os

# Add the current directory to Python path so we can import mits11_installer
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from mits11_installer.main import main

if __name__ == "__main__":
    sys.exit(main())
