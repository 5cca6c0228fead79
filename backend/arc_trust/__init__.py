"""Arc Raiders Trust Platform reputation backend."""
