# prinpos/ftypes.py
# Maybe для поиска по id, Either для команд, которые могут быть отклонены.
# Отказ (Rejection) - обычное значение, а не исключение: UI показывает reason как toast.

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar, Union

T = TypeVar("T")
U = TypeVar("U")
L = TypeVar("L")
R = TypeVar("R")


@dataclass(frozen=True)
class Rejection:
    """
    Причина отказа операции.
    code - машинный код (not_found, invalid_amount, illegal_transition, ...),
    reason - человекочитаемое сообщение.
    """

    code: str
    reason: str

    def __str__(self) -> str:
        return self.reason


@dataclass(frozen=True)
class Maybe(Generic[T]):
    """
    Результат поиска: Maybe.some(value) или Maybe.nothing().
    Промах по id - не ошибка, UI часто спрашивает несуществующие id.
    """

    value: Optional[T]

    @staticmethod
    def some(value: T) -> "Maybe[T]":
        return Maybe(value)

    @staticmethod
    def nothing() -> "Maybe[None]":
        return Maybe(None)

    @staticmethod
    def from_optional(value: Optional[T]) -> "Maybe[T]":
        return Maybe.some(value) if value is not None else Maybe.nothing()

    def is_some(self) -> bool:
        return self.value is not None

    def is_none(self) -> bool:
        return self.value is None

    def map(self, fn: Callable[[T], U]) -> "Maybe[U]":
        return Maybe.some(fn(self.value)) if self.is_some() else Maybe.nothing()

    def bind(self, fn: Callable[[T], "Maybe[U]"]) -> "Maybe[U]":
        return fn(self.value) if self.is_some() else Maybe.nothing()

    def get_or_else(self, default: U) -> T | U:
        return self.value if self.is_some() else default

    def to_either(self, rejection: Rejection) -> "Either[Rejection, T]":
        """Nothing -> Left(rejection), Some(x) -> Right(x)"""
        return Either.right(self.value) if self.is_some() else Either.left(rejection)

    def __repr__(self) -> str:
        return f"Some({self.value})" if self.is_some() else "Nothing"


@dataclass(frozen=True)
class Either(Generic[L, R]):
    """
    Either<Rejection, R>: левая ветвь - отказ, правая - новое состояние.
    Команда либо применяется целиком, либо не меняет ничего.
    """

    is_left: bool
    value: Union[L, R]

    @staticmethod
    def left(value: L) -> "Either[L, R]":
        return Either(True, value)

    @staticmethod
    def right(value: R) -> "Either[L, R]":
        return Either(False, value)

    @staticmethod
    def reject(code: str, reason: str) -> "Either[Rejection, R]":
        return Either.left(Rejection(code, reason))

    @property
    def is_right(self) -> bool:
        return not self.is_left

    def map(self, fn: Callable[[R], U]) -> "Either[L, U]":
        return Either.right(fn(self.value)) if not self.is_left else self  # type: ignore[return-value]

    def bind(self, fn: Callable[[R], "Either[L, U]"]) -> "Either[L, U]":
        return fn(self.value) if not self.is_left else self  # type: ignore[return-value]

    def get_or_else(self, default: U) -> R | U:
        return self.value if not self.is_left else default  # type: ignore[return-value]

    def error(self) -> Optional[L]:
        """Отказ (для Left) или None"""
        return self.value if self.is_left else None  # type: ignore[return-value]

    def __repr__(self) -> str:
        return f"Left({self.value})" if self.is_left else f"Right({self.value})"
