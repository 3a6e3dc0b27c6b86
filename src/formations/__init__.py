"""Formation management: CRUD, listing and file uploads."""
