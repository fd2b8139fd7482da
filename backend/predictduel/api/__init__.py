"""HTTP API for PredictDuel."""
