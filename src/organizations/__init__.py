"""Organization, profile and membership reference tables."""
