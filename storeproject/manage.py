#!/usr/bin/env python
"""Management entry point for the shop tracker."""
import os
import sys
from pathlib import Path

# the apps (stock, billing, profit, ...) live one level above this directory
REPO_ROOT = Path(__file__).resolve().parent.parent


def main():
    if str(REPO_ROOT) not in sys.path:
        sys.path.insert(0, str(REPO_ROOT))
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'storeproject.settings')
    try:
        from django.core.management import execute_from_command_line
    except ImportError as exc:
        raise ImportError(
            "Couldn't import Django. Install the project with `pip install -e .` "
            "and make sure its virtual environment is active."
        ) from exc
    execute_from_command_line(sys.argv)


if __name__ == '__main__':
    main()
