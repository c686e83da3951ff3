"""gitland: land reviewed local changes onto a remote branch."""
