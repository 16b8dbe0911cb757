"""Flow definition files shipped with ChatFlow."""
