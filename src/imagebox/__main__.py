"""
Entry point for running Imagebox as a module.

Usage:
    python -m imagebox [command] [options]
"""

from imagebox.cli import main

if __name__ == "__main__":
    main()
