"""
Main entry point for running the cloud carbon footprint model.

Usage:
    python -m ccf_model usage.json --provider aws --instance-type m5.large
    python -m ccf_model --list-instances gcp
"""

import sys

from .cli import main


if __name__ == "__main__":
    sys.exit(main())
