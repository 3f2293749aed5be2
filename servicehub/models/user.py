"""
Session User Model.

Identity and profile snapshot cached from the last successful login,
registration or profile update.  Field names are snake_case in Python;
the marketplace API and the persisted ``usuario`` record use the
Portuguese camelCase aliases.
"""

from __future__ import annotations

from typing import Optional

from pydantic import AliasChoices, BaseModel, Field

from servicehub.models.enums import AppMode


class SessionUser(BaseModel):
    """The authenticated account as the client knows it.

    ``preferred_mode`` is the server-synced mode preference.  It is
    accepted as ``modoPreferido`` or ``preferredMode`` and always written
    back as ``modoPreferido``.
    """

    id: int
    name: str = Field(alias="nome")
    phone: str = Field(alias="celular")
    photo_url: Optional[str] = Field(default=None, alias="fotoUrl")
    state: str = Field(alias="uf")
    city_ibge_id: int = Field(alias="cidadeIbgeId")
    city_name: str = Field(alias="cidadeNome")
    neighborhood: str = Field(alias="bairro")
    preferred_mode: Optional[AppMode] = Field(
        default=None,
        validation_alias=AliasChoices("modoPreferido", "preferredMode", "preferred_mode"),
        serialization_alias="modoPreferido",
    )

    model_config = {"populate_by_name": True, "from_attributes": True}

    def to_storage_json(self) -> str:
        """Serialise with wire aliases for the ``usuario`` storage key."""
        return self.model_dump_json(by_alias=True)


class UserProfile(BaseModel):
    """Profile fields echoed back by ``PUT /usuarios/me``."""

    name: str = Field(alias="nome")
    photo_url: Optional[str] = Field(default=None, alias="fotoUrl")
    state: str = Field(alias="uf")
    city_ibge_id: int = Field(alias="cidadeIbgeId")
    city_name: str = Field(alias="cidadeNome")
    neighborhood: str = Field(alias="bairro")

    model_config = {"populate_by_name": True}


def _accepted_keys(model: type[BaseModel]) -> frozenset[str]:
    keys: set[str] = set()
    for name, info in model.model_fields.items():
        keys.add(name)
        if info.alias:
            keys.add(info.alias)
        if isinstance(info.validation_alias, str):
            keys.add(info.validation_alias)
        elif isinstance(info.validation_alias, AliasChoices):
            keys.update(c for c in info.validation_alias.choices if isinstance(c, str))
    return frozenset(keys)


# Field names and wire aliases a SessionUser can be built from.
SESSION_USER_KEYS: frozenset[str] = _accepted_keys(SessionUser)
