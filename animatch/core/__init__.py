"""Core domain logic for animatch."""
