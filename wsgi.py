"""
WSGI entry point.

Point the host's WSGI configuration at this file:
  - Source code:    /home/<your-username>/golf-practice
  - Working dir:    /home/<your-username>/golf-practice
  - WSGI file:      /home/<your-username>/golf-practice/wsgi.py
  - Virtualenv:     /home/<your-username>/golf-practice/.venv
"""
import sys
import os

# Make sure the project directory is on the path
project_dir = os.path.dirname(os.path.abspath(__file__))
if project_dir not in sys.path:
    sys.path.insert(0, project_dir)

from app import app as application  # noqa: F401  (WSGI servers look for 'application')
