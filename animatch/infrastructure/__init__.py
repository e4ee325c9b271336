"""Storage and runtime infrastructure for animatch."""
