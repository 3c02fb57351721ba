#!filepath: tickcheck/api/__init__.py
