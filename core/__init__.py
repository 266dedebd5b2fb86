"""Ядро спільних (SSOT) утиліт проєкту.

Цей пакет містить лише загальні будівельні блоки:
- серіалізацію/десеріалізацію та час;
- грошові округлення;
- таксономію помилок;
- контракти (схеми payload) між шарами.

Алгоритми рушія живуть у `data/` та `profit_core/`.
"""

from __future__ import annotations

from . import errors as errors
from . import money as money
from . import serialization as serialization

__all__ = [
    "errors",
    "money",
    "serialization",
]
