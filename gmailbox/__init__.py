"""gmailbox - async Gmail mailbox facade.

Package layout:
- gmailbox.sdk: Mailbox facade, batch executor, authorizer and transports
- gmailbox.cli: Command-line interface
"""

import logging

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())
