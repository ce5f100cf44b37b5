"""Source probes: pseudo-terminal CLIs and credentialed HTTP."""
