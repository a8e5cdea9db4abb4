"""Environment and vault routing configuration."""
