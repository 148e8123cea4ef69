"""Pure market logic: models, indicators and strategies. No I/O."""
