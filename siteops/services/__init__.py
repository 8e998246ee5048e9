"""Use cases behind the HTTP surface."""
