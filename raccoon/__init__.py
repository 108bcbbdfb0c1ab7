"""Raccoon - GitLab webhook to IRC relay"""
__version__ = "0.1.0"
