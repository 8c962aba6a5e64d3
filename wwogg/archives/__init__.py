"""Archives where the WEM files are found."""
