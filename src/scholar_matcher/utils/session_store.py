"""
Session Store Module

Persists researcher record snapshots (JSONL, one record per line) and the raw
interest text (JSON) so a session survives between runs.

Example Usage:
    from scholar_matcher.utils.session_store import SessionStore

    store = SessionStore(state_dir="state")
    store.save(records, interests_text="Medical Imaging, Robotics")
    records, interests_text = store.load()
"""

import json
from pathlib import Path
from typing import Sequence

import jsonlines
from pydantic import ValidationError

from scholar_matcher.models.researcher import ResearcherRecord

RECORDS_FILE = "researchers.jsonl"
SESSION_FILE = "session.json"


class SessionStore:
    """Saves and loads the researcher list and the user's interest text."""

    def __init__(self, state_dir: str | Path = "state"):
        """
        Args:
            state_dir: Directory for state files (created if missing)
        """
        self.state_dir = Path(state_dir)
        self.state_dir.mkdir(parents=True, exist_ok=True)
        self.records_file = self.state_dir / RECORDS_FILE
        self.session_file = self.state_dir / SESSION_FILE

    def save(self, records: Sequence[ResearcherRecord], interests_text: str = "") -> None:
        """
        Write all records and the interest text, replacing previous state.

        Files are written to a temporary name and renamed so a crash never
        leaves a half-written state file.

        Raises:
            IOError: If state files cannot be written
        """
        records_tmp = self.records_file.with_suffix(".jsonl.tmp")
        session_tmp = self.session_file.with_suffix(".json.tmp")

        try:
            with jsonlines.open(records_tmp, mode="w") as writer:
                for record in records:
                    writer.write(record.model_dump(mode="json"))

            with open(session_tmp, "w", encoding="utf-8") as f:
                json.dump({"interests_text": interests_text}, f, indent=2)

            records_tmp.replace(self.records_file)
            session_tmp.replace(self.session_file)
        except OSError as e:
            raise IOError(f"Failed to save session state to {self.state_dir}: {e}") from e

    def load(self) -> tuple[list[ResearcherRecord], str]:
        """
        Load records and interest text.

        Returns:
            (records, interests_text); empty when nothing has been saved yet

        Raises:
            IOError: If a state file is corrupted
        """
        records: list[ResearcherRecord] = []
        if self.records_file.exists():
            try:
                with jsonlines.open(self.records_file) as reader:
                    for line in reader:
                        records.append(ResearcherRecord(**line))
            except (jsonlines.InvalidLineError, json.JSONDecodeError, ValidationError, TypeError) as e:
                raise IOError(f"Corrupted state file {self.records_file}: {e}") from e

        interests_text = ""
        if self.session_file.exists():
            try:
                with open(self.session_file, "r", encoding="utf-8") as f:
                    session = json.load(f)
            except json.JSONDecodeError as e:
                raise IOError(f"Corrupted state file {self.session_file}: {e}") from e
            interests_text = session.get("interests_text") or ""

        return records, interests_text
