"""Infrastructure: database engine, checkpoint store, observability."""
