"""HTTP and WebSocket surface for the last-digit predictor."""
