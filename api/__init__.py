"""HTTP-шар price-window рушія."""
