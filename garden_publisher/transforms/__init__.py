"""Compiler steps that rewrite note text."""
