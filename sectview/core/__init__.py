"""
Sectview Core Module
=====================

Data models, parse errors and the file-level engine.
"""
