"""JMAP client for Fastmail: session, mailboxes, threads, and email updates."""

from __future__ import annotations

import httpx

BATCH_SIZE = 100  # Max emails per Email/set call (conservative under Fastmail's 500 minimum)

# Mailboxes resolved by role rather than by name
ROLE_MAILBOXES = {"Inbox": "inbox", "Archive": "archive", "Trash": "trash"}


class JMAPClient:
    """Thin JMAP client over httpx for Fastmail operations.

    Usage:
        client = JMAPClient(token="fmu1-...")
        client.connect()  # discovers session (account_id, api_url)
        mailboxes = client.resolve_mailboxes(["Inbox", "Archive", "Social"])
    """

    def __init__(self, token: str, hostname: str = "api.fastmail.com") -> None:
        self._token = token
        self._hostname = hostname
        self._http = httpx.Client(
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {token}",
            },
        )
        self._api_url: str | None = None
        self._account_id: str | None = None

    @property
    def account_id(self) -> str:
        """Return the primary mail account ID. Raises if not connected."""
        if self._account_id is None:
            raise RuntimeError("JMAPClient is not connected. Call connect() first.")
        return self._account_id

    def connect(self) -> None:
        """Discover JMAP session: fetch account ID and API URL from Fastmail.

        Raises:
            httpx.HTTPStatusError: On 401 (bad token) or other HTTP errors.
            httpx.ConnectError: On network failure.
        """
        resp = self._http.get(f"https://{self._hostname}/jmap/session")
        resp.raise_for_status()
        data = resp.json()
        self._account_id = data["primaryAccounts"]["urn:ietf:params:jmap:mail"]
        self._api_url = data["apiUrl"]

    def call(self, method_calls: list) -> list:
        """Execute JMAP method calls against the API endpoint.

        Args:
            method_calls: List of [method_name, args, call_id] triples.

        Returns:
            List of methodResponses from the JMAP server.

        Raises:
            RuntimeError: If connect() has not been called, or the server
                answered a method call with an error response.
            httpx.HTTPStatusError: On HTTP errors from the API.
        """
        if self._api_url is None:
            raise RuntimeError("JMAPClient is not connected. Call connect() first.")

        payload = {
            "using": [
                "urn:ietf:params:jmap:core",
                "urn:ietf:params:jmap:mail",
            ],
            "methodCalls": method_calls,
        }
        resp = self._http.post(self._api_url, json=payload)
        resp.raise_for_status()
        responses = resp.json()["methodResponses"]
        for name, args, call_id in responses:
            if name == "error":
                raise RuntimeError(
                    f"JMAP method call {call_id} failed: "
                    f"{args.get('type', 'unknown')} - {args.get('description', '')}"
                )
        return responses

    def list_mailboxes(self) -> list[dict]:
        """Return every mailbox of the account (id, name, role, parentId)."""
        responses = self.call(
            [["Mailbox/get", {"accountId": self.account_id, "ids": None}, "m0"]]
        )
        return responses[0][1]["list"]

    def resolve_mailboxes(self, required_names: list[str]) -> dict[str, str]:
        """Resolve mailbox names to Fastmail mailbox IDs.

        Special handling:
        - "Inbox", "Archive" and "Trash" are resolved by role, not by name.
        - Custom mailboxes prefer top-level (parentId is None) when
          duplicate names exist at different hierarchy levels.

        Args:
            required_names: List of mailbox names that must exist.

        Returns:
            Dict mapping each required name to its Fastmail mailbox ID.

        Raises:
            ValueError: If any required mailbox names are not found,
                listing all missing names.
        """
        name_to_id: dict[str, str] = {}
        role_to_id: dict[str, str] = {}

        for mb in self.list_mailboxes():
            if mb.get("role"):
                role_to_id[mb["role"]] = mb["id"]

            name = mb["name"]
            # First occurrence wins, unless a later duplicate is top-level
            if name not in name_to_id or mb.get("parentId") is None:
                name_to_id[name] = mb["id"]

        result: dict[str, str] = {}
        missing: list[str] = []

        for name in required_names:
            if name in ROLE_MAILBOXES:
                mailbox_id = role_to_id.get(ROLE_MAILBOXES[name])
            else:
                mailbox_id = name_to_id.get(name)
            if mailbox_id is None:
                missing.append(name)
            else:
                result[name] = mailbox_id

        if missing:
            raise ValueError(
                f"Required mailboxes not found in Fastmail: {', '.join(missing)}"
            )

        return result

    def create_mailbox(self, name: str, parent_id: str | None = None) -> str:
        """Create a mailbox and return its server-assigned ID.

        Raises:
            RuntimeError: If Mailbox/set reports creation failed, with error type and description.
        """
        create_args: dict = {
            "name": name,
            "isSubscribed": True,
        }
        if parent_id is not None:
            create_args["parentId"] = parent_id

        responses = self.call(
            [["Mailbox/set", {
                "accountId": self.account_id,
                "create": {"mb0": create_args},
            }, "c0"]]
        )
        data = responses[0][1]
        created = data.get("created", {})
        if "mb0" in created:
            return created["mb0"]["id"]
        not_created = data.get("notCreated", {})
        error = not_created.get("mb0", {})
        raise RuntimeError(
            f"Failed to create mailbox '{name}': "
            f"{error.get('type', 'unknown')} - {error.get('description', '')}"
        )

    def get_emails(self, email_ids: list[str], properties: list[str]) -> dict[str, dict]:
        """Fetch ``properties`` for each email, keyed by email ID.

        IDs the server does not know are absent from the result.
        """
        responses = self.call(
            [
                [
                    "Email/get",
                    {
                        "accountId": self.account_id,
                        "ids": email_ids,
                        "properties": ["id", *properties],
                    },
                    "g0",
                ]
            ]
        )
        return {email["id"]: email for email in responses[0][1]["list"]}

    def get_threads(self, thread_ids: list[str]) -> dict[str, list[str]]:
        """Return the email IDs of each thread, oldest first, keyed by thread ID."""
        responses = self.call(
            [["Thread/get", {"accountId": self.account_id, "ids": thread_ids}, "t0"]]
        )
        return {thread["id"]: thread["emailIds"] for thread in responses[0][1]["list"]}

    def update_emails(self, update: dict[str, dict]) -> None:
        """Apply JMAP patches to emails, BATCH_SIZE emails per Email/set call.

        Args:
            update: Map of email ID to patch object, e.g.
                ``{"e1": {"mailboxIds/mb-a": True, "keywords/$seen": None}}``.

        Raises:
            RuntimeError: If any emails fail to update, with failed IDs listed.
        """
        email_ids = list(update)
        for chunk_start in range(0, len(email_ids), BATCH_SIZE):
            chunk = email_ids[chunk_start : chunk_start + BATCH_SIZE]

            responses = self.call(
                [
                    [
                        "Email/set",
                        {
                            "accountId": self.account_id,
                            "update": {email_id: update[email_id] for email_id in chunk},
                        },
                        "s0",
                    ]
                ]
            )
            data = responses[0][1]
            not_updated = data.get("notUpdated")
            if not_updated:
                errors = [
                    f"{eid}: {err.get('description', 'unknown error')}"
                    for eid, err in not_updated.items()
                ]
                raise RuntimeError(
                    f"Failed to update emails: {', '.join(errors)}"
                )
