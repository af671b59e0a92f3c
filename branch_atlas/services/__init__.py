"""Services for branch-atlas."""
