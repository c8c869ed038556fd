"""Services package - reservation core business logic."""
