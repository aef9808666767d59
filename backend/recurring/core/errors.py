"""Field-level validation errors collected on records instead of raised."""

from collections import defaultdict


class ErrorCollection:
    """Ordered mapping of field name to error messages."""

    def __init__(self) -> None:
        self._messages: dict[str, list[str]] = defaultdict(list)

    def add(self, field: str, message: str) -> None:
        self._messages[field].append(message)

    def clear(self) -> None:
        self._messages.clear()

    def __getitem__(self, field: str) -> list[str]:
        return list(self._messages.get(field, []))

    def __contains__(self, field: object) -> bool:
        return bool(self._messages.get(field))  # type: ignore[call-overload]

    def __bool__(self) -> bool:
        return any(self._messages.values())

    def __len__(self) -> int:
        return sum(len(messages) for messages in self._messages.values())

    def to_dict(self) -> dict[str, list[str]]:
        return {field: list(messages) for field, messages in self._messages.items() if messages}
