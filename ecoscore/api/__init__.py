"""HTTP API for the Classroom Eco-Score engine."""
