"""Read side: query cache, aggregate readers and report queries."""
