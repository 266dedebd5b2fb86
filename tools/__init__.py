"""CLI-утиліти (генерація фікстур)."""
