import json
import logging
import os
import tempfile
import uuid
from typing import Optional

from storefront_mcp.state import CartState

logger = logging.getLogger(__name__)

VISITOR_ID_FILE = "visitor_id"
CARTS_DIR = "carts"


class CartStorage:
    """Durable per-visitor cart slot on the local filesystem.

    The visitor id is generated once and never expires; it is the only
    identity the cart has. Reads fall back to an empty cart and writes are
    best-effort, so nothing here ever raises into the caller.
    """

    def __init__(self, state_dir: str):
        self.state_dir = state_dir
        self._visitor_id: Optional[str] = None

    def ensure_visitor_id(self) -> str:
        if self._visitor_id:
            return self._visitor_id

        path = os.path.join(self.state_dir, VISITOR_ID_FILE)
        try:
            with open(path) as f:
                visitor_id = f.read().strip()
        except OSError:
            visitor_id = ""

        if not visitor_id:
            visitor_id = uuid.uuid4().hex
            try:
                os.makedirs(self.state_dir, exist_ok=True)
                with open(path, "w") as f:
                    f.write(visitor_id)
                logger.info(f"Created visitor id {visitor_id}")
            except OSError as e:
                logger.warning(f"Failed to persist visitor id: {e}")

        self._visitor_id = visitor_id
        return visitor_id

    @property
    def slot_path(self) -> str:
        return os.path.join(self.state_dir, CARTS_DIR, f"{self.ensure_visitor_id()}.json")

    def load(self) -> CartState:
        path = self.slot_path
        if not os.path.exists(path):
            return CartState()
        try:
            with open(path) as f:
                data = json.load(f)
            return CartState.from_dict(data)
        except (OSError, ArithmeticError, ValueError, TypeError, KeyError, AttributeError) as e:
            logger.warning(f"Discarding unreadable cart at {path}: {e}")
            return CartState()

    def save(self, state: CartState) -> None:
        path = self.slot_path
        try:
            data = state.to_dict()
            directory = os.path.dirname(path)
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
            try:
                with os.fdopen(fd, "w") as f:
                    json.dump(data, f)
                os.replace(tmp_path, path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
                raise
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Failed to save cart to {path}: {e}")
