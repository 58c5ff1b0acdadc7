"""Central configuration helper for the vault similarity bridge."""

import logging
import os
from typing import Any


class HelperConfig:
    """Typed access to environment settings plus the shared application logger.

    Keys are case-insensitive. A variable that is unset or empty falls back
    to `default`; without a default every reader raises ValueError.
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def _read(self, key: str, default: Any) -> tuple[str | None, Any]:
        raw = (os.getenv(key.upper()) or "").strip() or None
        if raw is None and default is None:
            raise ValueError(f"Environment variable '{key.upper()}' is not set.")
        return raw, default

    def get_string_val(self, key: str, default: str | None = None) -> str:
        raw, default = self._read(key, default)
        return default if raw is None else raw

    def get_number_val(self, key: str, default: float | int | None = None) -> float | int:
        """Parse "3" as int and "0.7" as float.

        Raises:
            ValueError: If the value is not a number.
        """
        raw, default = self._read(key, default)
        if raw is None:
            return default
        try:
            return float(raw) if "." in raw else int(raw)
        except ValueError:
            raise ValueError(f"Environment variable '{key.upper()}' is not a valid number: '{raw}'.")

    def get_bool_val(self, key: str, default: bool | None = None) -> bool:
        """Only "true", "1" and "yes" (any case) count as True."""
        raw, default = self._read(key, default)
        if raw is None:
            return default
        return raw.lower() in ("true", "1", "yes")

    def get_list_val(self, key: str, default: list[str] | None = None, separator: str = ",", element_type: type = str) -> list:
        """Parse a bracketed list such as "[md, txt]". Blank elements are dropped.

        Raises:
            ValueError: If the brackets are missing or an element cannot be cast to `element_type`.
        """
        raw, default = self._read(key, default)
        if raw is None:
            return default
        if not (raw.startswith("[") and raw.endswith("]")):
            raise ValueError(f"Environment variable '{key.upper()}' must be in the format '[elem1{separator}elem2{separator}...]'. Got: '{raw}'")
        try:
            return [element_type(part.strip()) for part in raw[1:-1].split(separator) if part.strip()]
        except ValueError as e:
            raise ValueError(f"Environment variable '{key.upper()}' has an element that is not a valid {element_type.__name__}: {e}")

    def get_typed_val(self, key: str, val_type: str = "string", default: Any = None) -> Any:
        """Read a variable through the reader named by `val_type`: "string", "number", "bool" or "list".

        Raises:
            ValueError: If `val_type` is unknown, or from the selected reader.
        """
        readers = {
            "string": self.get_string_val,
            "number": self.get_number_val,
            "bool": self.get_bool_val,
            "list": self.get_list_val,
        }
        if val_type not in readers:
            raise ValueError(f"Unsupported config value type '{val_type}' for environment variable '{key.upper()}'.")
        return readers[val_type](key, default=default)

    def get_logger(self) -> logging.Logger:
        return self._logger
