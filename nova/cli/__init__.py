"""CLI module for nova."""
