"""Google Workspace backend-for-frontend."""
