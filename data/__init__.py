"""Файлове джерело цін, розріджений індекс часу та Range Scanner."""
