"""
documap Model Registry — global registry for all mapped classes.

Tracks concrete classes by discriminator and collection roots by
collection name, and resolves stored discriminators to classes.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Type, TYPE_CHECKING

from ..faults.domains import ModelRegistrationFault, ResolutionFault

if TYPE_CHECKING:
    from .base import Model

logger = logging.getLogger("documap.models.registry")

__all__ = ["ModelRegistry"]


class ModelRegistry:
    """
    Global registry for all mapped classes.

    Registering a second class under an existing discriminator replaces
    the first one.
    """

    _models: Dict[str, Type[Model]] = {}          # discriminator → class
    _collections: Dict[str, Type[Model]] = {}     # collection name → root class (may be abstract)

    @classmethod
    def register(cls, model_cls: Type[Model]) -> None:
        """
        Register a concrete mapped class.

        The collection name is recorded against the class's root, which may
        be an abstract base. Reference namespaces are bare collection names,
        so two unrelated roots may not claim the same one, even on different
        databases.
        """
        opts = model_cls._meta
        owner = opts.root
        name = opts.binding.name
        current = cls._collections.get(name)
        if current is not None and current is not owner:
            rebinding = (
                current._meta.discriminator == owner._meta.discriminator
                and current._meta.binding == owner._meta.binding
            )
            if not rebinding:
                raise ModelRegistrationFault(
                    model_cls.__name__,
                    f"collection '{name}' is already mapped by {current.__name__}",
                )

        previous = cls._models.get(opts.discriminator)
        if previous is not None and previous is not model_cls:
            logger.debug(
                f"Discriminator '{opts.discriminator}' rebound from "
                f"{previous.__module__}.{previous.__qualname__} to "
                f"{model_cls.__module__}.{model_cls.__qualname__}"
            )
        cls._models[opts.discriminator] = model_cls
        cls._collections[name] = owner

        logger.debug(f"Registered {model_cls.__name__} (collection={name}, root={owner.__name__})")

    @classmethod
    def get(cls, discriminator: str) -> Optional[Type[Model]]:
        """Get a mapped class by discriminator."""
        return cls._models.get(discriminator)

    @classmethod
    def for_collection(cls, name: str) -> Optional[Type[Model]]:
        """Root class bound to collection ``name``."""
        return cls._collections.get(name)

    @classmethod
    def all_models(cls) -> Dict[str, Type[Model]]:
        """Get all registered classes keyed by discriminator."""
        return dict(cls._models)

    @classmethod
    def resolve(cls, discriminator: Any, issuing_cls: Type[Model]) -> Type[Model]:
        """
        Pick the class to instantiate for a raw document.

        - no discriminator: the issuing class
        - the issuing class or a descendant: that class
        - an ancestor of the issuing class: the issuing class
        - anything else: ResolutionFault
        """
        if discriminator is None:
            return issuing_cls

        issuing_opts = issuing_cls._meta
        if discriminator == issuing_opts.discriminator:
            return issuing_cls

        target = cls._models.get(discriminator) if isinstance(discriminator, str) else None
        if target is not None and target._meta.descends_from(issuing_opts.discriminator):
            return target

        if isinstance(discriminator, str) and issuing_opts.descends_from(discriminator):
            return issuing_cls

        if target is None:
            reason = f"unknown discriminator {discriminator!r}"
        else:
            reason = f"{target.__name__} is not {issuing_cls.__name__} or one of its subclasses"
        raise ResolutionFault(str(discriminator), reason)

    @classmethod
    def subtree(cls, model_cls: Type[Model]) -> List[str]:
        """Discriminators of ``model_cls`` and every registered descendant."""
        discriminator = model_cls._meta.discriminator
        return [
            name for name, candidate in cls._models.items()
            if candidate._meta.descends_from(discriminator)
        ]

    @classmethod
    def ensure_indexes(cls) -> List[str]:
        """Create every declared index on its class's collection."""
        created: List[str] = []
        for model_cls in cls._models.values():
            created.extend(model_cls.ensure_indexes())
        return created

    @classmethod
    def snapshot(cls) -> Dict[str, Dict[str, Type[Model]]]:
        return {"models": dict(cls._models), "collections": dict(cls._collections)}

    @classmethod
    def restore(cls, state: Dict[str, Dict[str, Type[Model]]]) -> None:
        cls._models.clear()
        cls._models.update(state["models"])
        cls._collections.clear()
        cls._collections.update(state["collections"])

    @classmethod
    def reset(cls) -> None:
        """Clear registry (for testing)."""
        cls._models.clear()
        cls._collections.clear()
