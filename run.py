#!/usr/bin/env python3
"""
Cita Previa Checker - Main Entry Point
"""
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from cita_checker.runner import main


if __name__ == "__main__":
    main()
