"""
Main entry point for filecron when run as a module.
Allows execution via: python -m filecron
"""

from filecron.cli import main

if __name__ == '__main__':
    main()
