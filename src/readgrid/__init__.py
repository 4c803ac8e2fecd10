"""Reflow-stable terminal layout and interaction engine for e-book chapters."""
