"""
String key-value stores holding the persisted notification state.

Values are strings (JSON-encoded arrays of medicine ids). Listeners are
called with the set of keys that changed, both for our own writes and for
writes made to the same file by another process.
"""

import json
import os
import sys
import threading
from typing import Callable, Dict, Optional, Set, Tuple

Listener = Callable[[Set[str]], None]
Updater = Callable[[Optional[str]], Optional[str]]


class KeyValueStore:
    """Minimal string store with change notification."""

    def __init__(self):
        self._listeners = []
        self._listeners_lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str, notify: bool = True) -> Set[str]:
        """Store *value*.

        Returns keys that other writers changed underneath us. With
        notify=False nothing is announced and the caller must pass *key* and
        the returned keys to notify() itself.
        """
        raise NotImplementedError

    def update(self, key: str, fn: Updater, notify: bool = True) -> Set[str]:
        """Atomically replace the value of *key* with ``fn(current)``.

        *fn* receives the stored string (or None) and returns the new string,
        or None to leave the key untouched. No other writer, in this process
        or another one sharing the same file, can slip in between the read
        and the write. Returns every key that changed, *key* included when
        it was written; with notify=False the caller announces them.
        """
        raise NotImplementedError

    def check_for_changes(self) -> Set[str]:
        """Pick up writes made outside this process; nothing to do by default."""
        return set()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener*; returns a callable that removes it."""
        with self._listeners_lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._listeners_lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def notify(self, keys: Set[str]) -> None:
        if not keys:
            return
        with self._listeners_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(set(keys))
            except Exception as e:
                print(f"[WARN] storage listener failed: {e}", file=sys.stderr)


class MemoryStore(KeyValueStore):
    """Process-local store, used by tests and when no file is configured."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        super().__init__()
        self._data: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str, notify: bool = True) -> Set[str]:
        with self._lock:
            self._data[key] = value
        if notify:
            self.notify({key})
        return set()

    def update(self, key: str, fn: Updater, notify: bool = True) -> Set[str]:
        with self._lock:
            current = self._data.get(key)
            value = fn(current)
            if value is None or value == current:
                return set()
            self._data[key] = value
        if notify:
            self.notify({key})
        return {key}


class JsonFileStore(KeyValueStore):
    """Durable store backed by a single JSON object file.

    The file maps keys to string values, like browser localStorage. Writes go
    through a temp file and ``os.replace`` so readers never see a partial
    document.
    """

    def __init__(self, path: str):
        super().__init__()
        self.path = path
        self._lock = threading.Lock()
        self._data: Dict[str, str] = {}
        self._stamp: Optional[Tuple[int, int]] = None
        with self._lock:
            self._data, self._stamp = self._read_file()

    # ── File helpers ─────────────────────────────────────────────────

    def _file_stamp(self) -> Optional[Tuple[int, int]]:
        try:
            st = os.stat(self.path)
        except OSError:
            return None
        return (st.st_mtime_ns, st.st_size)

    def _read_file(self) -> Tuple[Dict[str, str], Optional[Tuple[int, int]]]:
        stamp = self._file_stamp()
        if stamp is None:
            return {}, None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                doc = json.load(f)
        except (OSError, ValueError) as e:
            print(f"[WARN] could not read {self.path}, starting empty: {e}", file=sys.stderr)
            return {}, stamp
        if not isinstance(doc, dict):
            print(f"[WARN] {self.path} is not a JSON object, starting empty", file=sys.stderr)
            return {}, stamp
        return {str(k): v for k, v in doc.items() if isinstance(v, str)}, stamp

    def _write_file(self) -> None:
        directory = os.path.dirname(self.path)
        try:
            if directory:
                os.makedirs(directory, exist_ok=True)
            tmp_path = f"{self.path}.tmp"
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2, sort_keys=True)
            os.replace(tmp_path, self.path)
        except OSError as e:
            print(f"[ERROR] could not persist {self.path}: {e}", file=sys.stderr)
            return
        self._stamp = self._file_stamp()

    # ── Store API ────────────────────────────────────────────────────

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def _reload_if_changed(self) -> Set[str]:
        # Caller holds self._lock.
        if self._file_stamp() == self._stamp:
            return set()
        fresh, stamp = self._read_file()
        changed = {
            k for k in set(fresh) | set(self._data)
            if fresh.get(k) != self._data.get(k)
        }
        self._data, self._stamp = fresh, stamp
        return changed

    def set(self, key: str, value: str, notify: bool = True) -> Set[str]:
        # Merge writes made by other processes first so we never clobber their keys.
        with self._lock:
            external = self._reload_if_changed() - {key}
            self._data[key] = value
            self._write_file()
        if notify:
            self.notify(external | {key})
        return external

    def update(self, key: str, fn: Updater, notify: bool = True) -> Set[str]:
        # Reload first so fn sees what other processes wrote to this key.
        with self._lock:
            changed = self._reload_if_changed()
            current = self._data.get(key)
            value = fn(current)
            if value is not None and value != current:
                self._data[key] = value
                self._write_file()
                changed.add(key)
        if notify:
            self.notify(changed)
        return changed

    def check_for_changes(self) -> Set[str]:
        """Reload the file if someone else wrote it; return the changed keys."""
        with self._lock:
            changed = self._reload_if_changed()
        if changed:
            print(f"[store] external change to {len(changed)} key(s) in {self.path}")
        self.notify(changed)
        return changed
