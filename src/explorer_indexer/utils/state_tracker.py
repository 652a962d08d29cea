import json
import os
from threading import Lock
from typing import Dict, List, Optional


class MissingBlockTracker:
    """
    A thread-safe tracker for blocks whose indexing failed and need to be retried.

    Each entry keeps the error kind of the last failure so a retry loop can skip
    blocks that keep failing for the same unrecoverable reason.
    """

    def __init__(self, filepath: Optional[str] = "missing_blocks.json"):
        # filepath=None keeps the state in memory only
        self.filepath = filepath
        self.lock = Lock()
        self.missing_blocks: Dict[int, str] = self._load_state()

    def _load_state(self) -> Dict[int, str]:
        if not self.filepath or not os.path.exists(self.filepath):
            return {}
        with open(self.filepath, 'r') as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError:
                return {}
        return {int(number): reason for number, reason in data.get("missing_blocks", {}).items()}

    def _save_state(self) -> None:
        if not self.filepath:
            return
        with open(self.filepath, 'w') as f:
            state = {str(number): reason for number, reason in sorted(self.missing_blocks.items())}
            json.dump({"missing_blocks": state}, f, indent=4)

    def add_block(self, block_number: int, reason: str = "unknown") -> None:
        with self.lock:
            if self.missing_blocks.get(block_number) != reason:
                self.missing_blocks[block_number] = reason
                self._save_state()

    def remove_block(self, block_number: int) -> None:
        with self.lock:
            if self.missing_blocks.pop(block_number, None) is not None:
                self._save_state()

    def get_first_block(self) -> int | None:
        with self.lock:
            if self.missing_blocks:
                return min(self.missing_blocks)
            return None

    def get_all_blocks(self) -> List[int]:
        with self.lock:
            return sorted(self.missing_blocks)
