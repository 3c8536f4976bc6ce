"""HTTP API for the rules engine, the simulator and batch testing."""
