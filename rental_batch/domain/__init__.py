"""Pure scheduling logic. No I/O, no clock access."""
