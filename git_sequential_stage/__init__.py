"""git-sequential-stage: stage selected hunks of a patch by content identity."""
