"""Bootstrap процесу: налаштування та точка входу."""
