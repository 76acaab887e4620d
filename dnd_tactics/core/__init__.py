"""Rules engine: pure functions over combatant, grid and catalog state."""
