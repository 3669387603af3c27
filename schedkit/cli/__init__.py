"""CLI module for schedkit."""
