"""Command-line surface: argument parsing and summary rendering."""
