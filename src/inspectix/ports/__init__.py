"""Port interfaces for the backend boundaries."""
