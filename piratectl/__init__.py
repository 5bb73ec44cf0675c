"""Host-side client for the Bus Pirate binary protocol."""
