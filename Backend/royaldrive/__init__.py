"""Royal Drive dealership back-office API."""
