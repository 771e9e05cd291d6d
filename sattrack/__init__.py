"""SAT Tracker notification backend."""
