"""Request routing, upstream fetching and response shaping."""
