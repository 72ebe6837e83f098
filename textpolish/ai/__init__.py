"""AI-facing layer: providers, retry policy and text helpers."""
