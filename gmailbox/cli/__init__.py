"""gmailbox command-line interface."""
