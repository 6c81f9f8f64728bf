"""Customer support triage: a router hands tickets off to specialist agents."""

from __future__ import annotations

from typing import Any

from agentprobe.client import GenerationClient


class TriageAgent:
    def __init__(self, client: GenerationClient) -> None:
        self.client = client

    async def run(self, ticket: str) -> dict[str, Any]:
        department = (await self.client.generate(f"Classify ticket: {ticket}")).strip().lower()
        return {"handoff_to": department, "ticket": ticket}


class SpecialistAgent:
    """Drafts a reply; the reviewer channel picks it up when one is declared."""

    def __init__(self, client: GenerationClient, department: str) -> None:
        self.client = client
        self.department = department

    async def run(self, message: dict[str, Any]) -> str:
        return await self.client.generate(f"[{self.department}] Reply to: {message['ticket']}")


class ReviewerAgent:
    def __init__(self, client: GenerationClient) -> None:
        self.client = client

    async def run(self, draft: str) -> str:
        return await self.client.generate(f"Review draft: {draft}")
