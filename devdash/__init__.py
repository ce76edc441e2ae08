"""
Developer Dashboard

A personal dashboard for developers: GitHub issues and pull requests
awaiting review, notes, goals and a pomodoro timer, with an admin panel
for user management.
"""

__version__ = "1.0.0"
__author__ = "Developer Dashboard"
__description__ = "Developer dashboard for GitHub work, notes, goals and focus time"
