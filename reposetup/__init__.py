"""reposetup — register a vendor's signed package repository on a Linux host."""

__version__ = "0.1.0"
