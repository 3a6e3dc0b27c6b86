"""Quiz authoring, submission and scoring."""
