"""HTTP boundary for the shift engine."""
