"""Media acquisition, transcript resolution and content assembly."""
