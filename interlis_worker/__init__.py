"""INTERLIS validation worker: job scheduling, ilitools invocation and post-processing."""
