# Standard Library
import hashlib
import json
import os
import threading
from datetime import datetime
from datetime import timezone


#============================================
class GitHubQueryCache:
	"""
	Filesystem-backed cache for GitHub query payloads.

	Entries are JSON files named by category plus a sha256 of the query, so
	concurrent report runs for different repositories never share a file.
	"""

	def __init__(self, cache_dir: str, default_ttl_seconds: int):
		self.cache_dir = os.path.abspath(cache_dir)
		self.default_ttl_seconds = int(default_ttl_seconds)
		self._write_lock = threading.Lock()
		os.makedirs(self.cache_dir, exist_ok=True)

	#============================================
	def cache_path(self, category: str, query: dict) -> str:
		key_text = json.dumps(
			{"category": category, "query": query},
			sort_keys=True,
			ensure_ascii=True,
		)
		hash_text = hashlib.sha256(key_text.encode("utf-8")).hexdigest()
		return os.path.join(self.cache_dir, f"{category}_{hash_text}.json")

	#============================================
	def _entry_age_seconds(self, payload: dict) -> float | None:
		fetched_at_text = str(payload.get("fetched_at", "")).strip()
		if not fetched_at_text:
			return None
		try:
			fetched_at = datetime.fromisoformat(fetched_at_text.replace("Z", "+00:00"))
		except ValueError:
			return None
		if fetched_at.tzinfo is None:
			fetched_at = fetched_at.replace(tzinfo=timezone.utc)
		return (datetime.now(timezone.utc) - fetched_at.astimezone(timezone.utc)).total_seconds()

	#============================================
	def get(self, category: str, query: dict, ttl_seconds: int | None = None):
		"""
		Return cached data for a query, or None when missing or expired.

		A negative ttl never expires.
		"""
		if ttl_seconds is None:
			ttl_seconds = self.default_ttl_seconds
		path = self.cache_path(category, query)
		if not os.path.isfile(path):
			return None
		try:
			with open(path, "r", encoding="utf-8") as handle:
				payload = json.load(handle)
		except (OSError, json.JSONDecodeError):
			return None
		if not isinstance(payload, dict):
			return None
		age_seconds = self._entry_age_seconds(payload)
		if age_seconds is None or age_seconds < 0:
			return None
		if ttl_seconds >= 0 and age_seconds > ttl_seconds:
			return None
		return payload.get("data")

	#============================================
	def set(self, category: str, query: dict, data) -> str:
		path = self.cache_path(category, query)
		payload = {
			"category": category,
			"query": query,
			"fetched_at": datetime.now(timezone.utc).isoformat(),
			"data": data,
		}
		temp_path = path + ".tmp"
		with self._write_lock:
			with open(temp_path, "w", encoding="utf-8") as handle:
				json.dump(payload, handle, ensure_ascii=True, sort_keys=True, indent=2)
				handle.write("\n")
			os.replace(temp_path, path)
		return path

	#============================================
	def invalidate(self, category: str, query: dict) -> bool:
		"""
		Delete one cached entry; return True when a file was removed.
		"""
		path = self.cache_path(category, query)
		if not os.path.isfile(path):
			return False
		os.remove(path)
		return True
