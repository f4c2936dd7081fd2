"""
Sectview Output Module
=======================

Console renderers and report generators for section layouts.
"""
