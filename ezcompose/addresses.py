from dataclasses import dataclass
from email.utils import formataddr
from enum import Enum
from typing import Iterable, Iterator, Mapping

from .utils import is_valid_email


class Role(str, Enum):
    """Address list a recipient belongs to."""

    TO = "to"
    CC = "cc"
    BCC = "bcc"
    REPLY_TO = "reply_to"


RECIPIENT_ROLES = (Role.TO, Role.CC, Role.BCC)


@dataclass(frozen=True)
class Recipient:
    """One address with an optional display name.

    Attributes:
        email (str): The bare address, as given (case preserved).
        name (str | None): Display name shown in headers.

    Example:
        Recipient("jane@example.com", "Jane").format()   # "Jane <jane@example.com>"
    """

    email: str
    name: str | None = None

    @property
    def key(self) -> str:
        return self.email.lower()

    def format(self, charset: str = "utf-8") -> str:
        """Renders ``Name <email>``, or the bare address when there is no name."""
        if not self.name:
            return self.email
        return formataddr((self.name, self.email), charset)


AddressInput = str | Mapping[str, str | None] | Iterable[str | tuple[str, str | None]]


class AddressList:
    """Insertion-ordered set of recipients keyed by lower-cased address.

    Adding an address that is already present keeps its position and replaces
    the stored recipient, so the latest name wins.
    """

    def __init__(self):
        self._recipients: dict[str, Recipient] = {}

    def add(self, email: str, name: str | None = None) -> Recipient:
        """Adds or replaces a recipient.

        Args:
            email (str): The address; surrounding whitespace is removed.
            name (str, optional): Display name. Empty names are dropped.

        Returns:
            Recipient: The stored recipient.

        Raises:
            ValueError: If ``email`` is empty or not a string.

        Example:
            addresses.add("jane@example.com", "Jane")
        """
        if not isinstance(email, str) or not email.strip():
            raise ValueError(f"Email address must be a non-empty string, got {email!r}.")
        recipient = Recipient(email.strip(), name or None)
        self._recipients[recipient.key] = recipient
        return recipient

    def clear(self) -> None:
        """Removes every recipient."""
        self._recipients.clear()

    def emails(self) -> list[str]:
        """The addresses in insertion order."""
        return [recipient.email for recipient in self]

    def format(self, charset: str = "utf-8") -> str:
        return format_addresses(self, charset)

    def __iter__(self) -> Iterator[Recipient]:
        return iter(list(self._recipients.values()))

    def __len__(self) -> int:
        return len(self._recipients)

    def __contains__(self, email: object) -> bool:
        return isinstance(email, str) and email.lower() in self._recipients

    def __repr__(self) -> str:
        return f"AddressList({self.emails()!r})"


def format_addresses(recipients: Iterable[Recipient], charset: str = "utf-8") -> str:
    """Joins recipients as a header value, e.g. ``Jane <j@x.com>, k@y.com``."""
    return ", ".join(recipient.format(charset) for recipient in recipients)


class AddressBook:
    """Holds the to/cc/bcc/reply-to lists and the single sender of a draft.

    Example:
        book = AddressBook()
        book.add("to", {"jane@example.com": "Jane", "bob@example.com": None})
        book.add("cc", ["team@example.com"])
        book.set_from("me@example.com", "Me")
    """

    def __init__(self):
        self.lists: dict[Role, AddressList] = {role: AddressList() for role in Role}
        self.sender: Recipient | None = None

    def __getitem__(self, role: Role | str) -> AddressList:
        return self.lists[Role(role)]

    def add(self, role: Role | str, address: AddressInput, name: str | None = None) -> None:
        """Adds one or more addresses to a list.

        Args:
            role (Role | str): ``to``, ``cc``, ``bcc`` or ``reply_to``.
            address: A single address (``name`` applies to it), a mapping of
                address to name, or an iterable of addresses and/or
                ``(address, name)`` pairs.
            name (str, optional): Display name for a single address.

        Raises:
            ValueError: If the role is unknown or an address is empty.
        """
        target = self[role]

        if isinstance(address, str):
            target.add(address, name)
        elif isinstance(address, Mapping):
            for email, entry_name in address.items():
                target.add(email, entry_name)
        else:
            for entry in address:
                if isinstance(entry, tuple):
                    target.add(*entry)
                else:
                    target.add(entry)

    def clear(self, *roles: Role | str) -> None:
        """Empties the given lists, leaving the others untouched."""
        for role in roles:
            self[role].clear()

    def set_from(self, email: str, name: str | None = None) -> None:
        """Sets the single sender, replacing any previous one.

        Args:
            email (str): Sender address. A blank string unsets the sender.
            name (str, optional): Display name.

        Raises:
            ValueError: If ``email`` is not a string.
        """
        if not isinstance(email, str):
            raise ValueError("From address must be a string.")
        self.sender = Recipient(email.strip(), name or None) if email.strip() else None

    def clear_from(self) -> None:
        self.sender = None

    def has_recipients(self) -> bool:
        return any(len(self[role]) for role in RECIPIENT_ROLES)

    def validate(self) -> list[tuple[Role, Recipient]]:
        """Checks every to/cc/bcc address.

        Reply-to and the sender are not checked. Nothing is raised and the
        lists are not modified.

        Returns:
            list[tuple[Role, Recipient]]: Every failing ``(role, recipient)``
            pair in list order. An empty list means all addresses are valid.
        """
        return [
            (role, recipient)
            for role in RECIPIENT_ROLES
            for recipient in self[role]
            if not is_valid_email(recipient.email)
        ]
