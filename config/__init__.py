"""Дефолтні константи та ENV-перевизначення."""
