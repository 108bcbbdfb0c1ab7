"""Core bridge logic: formatting, routing, queueing, pacing."""
