"""Status workflow, todo plan and execution services."""
