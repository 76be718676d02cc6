"""버전 작성자(actor)를 알려주는 identity resolver 구현 모음입니다."""

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Optional, Protocol

from versionable.refs import ModelRef

_current_actor: ContextVar[Optional[ModelRef]] = ContextVar("versionable_current_actor", default=None)


class IdentityResolver(Protocol):
    def current_actor(self) -> Optional[ModelRef]:
        ...


def as_actor_ref(actor) -> Optional[ModelRef]:
    if actor is None or isinstance(actor, ModelRef):
        return actor
    return ModelRef.for_instance(actor)


class NullIdentityResolver:
    def current_actor(self) -> Optional[ModelRef]:
        return None


class StaticIdentityResolver:
    def __init__(self, actor=None):
        self.actor = as_actor_ref(actor)

    def current_actor(self) -> Optional[ModelRef]:
        return self.actor


class ContextIdentityResolver:
    """요청/작업 단위 컨텍스트 변수에 저장된 actor 를 돌려준다."""

    def current_actor(self) -> Optional[ModelRef]:
        return _current_actor.get()

    @contextmanager
    def acting_as(self, actor):
        token = _current_actor.set(as_actor_ref(actor))
        try:
            yield
        finally:
            _current_actor.reset(token)
