from typing import Protocol, Sequence


class CompletionProvider(Protocol):
    """Chat-completion provider contract: a message list in, the first completion's text out."""

    def complete(
        self,
        *,
        messages: Sequence[dict[str, str]],
        temperature: float,
    ) -> str:
        ...
