"""
Sectview Module Entry Point
============================

Allows running the sectview CLI via: python -m sectview
"""

from sectview.cli import main

if __name__ == "__main__":
    main()
