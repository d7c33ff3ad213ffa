"""tracker/ -- Incident and end-user records read and updated by admins."""
