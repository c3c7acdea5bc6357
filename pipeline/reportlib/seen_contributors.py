# Standard Library
import hashlib
import json
import os
import threading


#============================================
def repo_key(owner: str, repo: str) -> str:
	"""
	Hash owner/repo into the store key.
	"""
	text = f"{owner}/{repo}".lower()
	return hashlib.sha256(text.encode("utf-8")).hexdigest()


#============================================
class SeenContributorStore:
	"""
	JSON file of contributor logins already reported per repository.
	"""

	def __init__(self, path: str):
		self.path = os.path.abspath(path)
		self._lock = threading.Lock()
		self._data = self._load()

	#============================================
	def _load(self) -> dict[str, list[str]]:
		if not os.path.isfile(self.path):
			return {}
		with open(self.path, "r", encoding="utf-8") as handle:
			data = json.load(handle)
		if not isinstance(data, dict):
			raise RuntimeError(f"Seen contributor store must hold a mapping: {self.path}")
		return data

	#============================================
	def _save(self) -> None:
		parent = os.path.dirname(self.path)
		if parent:
			os.makedirs(parent, exist_ok=True)
		with open(self.path, "w", encoding="utf-8") as handle:
			json.dump(self._data, handle, ensure_ascii=True, sort_keys=True, indent=2)
			handle.write("\n")

	#============================================
	def contains(self, owner: str, repo: str, login: str) -> bool:
		with self._lock:
			return login in self._data.get(repo_key(owner, repo), [])

	#============================================
	def add(self, owner: str, repo: str, login: str) -> None:
		with self._lock:
			logins = self._data.setdefault(repo_key(owner, repo), [])
			if login in logins:
				return
			logins.append(login)
			self._save()
