"""Core infrastructure: exceptions, logging and process supervision."""
