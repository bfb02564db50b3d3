"""Contact, block list and chat messaging service."""
