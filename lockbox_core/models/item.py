"""
Credential item domain models.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True, kw_only=True)
class ItemEntry:
    """
    Typed entry fields of a stored secret.

    Attributes:
        kind: Entry kind tag ("login" for website logins).
        username: Account username.
        password: Account password.
        notes: Free-form notes.
    """

    kind: str = "login"
    username: str | None = None
    password: str | None = None
    notes: str | None = None


@dataclass(frozen=True, kw_only=True)
class Item:
    """
    A credential record as stored in the datastore.

    Attributes:
        id: Datastore identifier. None until the item has been persisted.
        title: Display title.
        origins: Origin URLs the credential applies to.
        entry: Typed entry fields.
        tags: Free-form tags.
        created: Creation time in milliseconds since the epoch.
        modified: Last modification time in milliseconds since the epoch.
        last_used: Last use time in milliseconds since the epoch.
    """

    id: str | None = None
    title: str = ""
    origins: tuple[str, ...] = ()
    entry: ItemEntry = field(default_factory=ItemEntry)
    tags: tuple[str, ...] = ()
    created: int | None = None
    modified: int | None = None
    last_used: int | None = None

    @property
    def kind(self) -> str:
        """Entry kind tag."""
        return self.entry.kind
