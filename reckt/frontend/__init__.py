"""Frontend: program dumps and entry points."""
