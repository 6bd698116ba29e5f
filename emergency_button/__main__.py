"""
Emergency Button CLI Entry Point

This module allows running the tool as:
    python -m emergency_button [command] [options]
"""

from emergency_button.cli import main

if __name__ == "__main__":
    main()
