class WordNotFound(LookupError):
	"""The word does not exist or is not owned by the caller."""

	def __init__(self, word_id: str) -> None:
		super().__init__(f"word {word_id} not found")
		self.word_id = word_id


class DuplicateWord(ValueError):
	def __init__(self, word: str) -> None:
		super().__init__(f"word '{word}' is already in the vocabulary")
		self.word = word


class DefinitionUnavailable(RuntimeError):
	"""The LLM could not produce a usable definition."""


class QuotaExceeded(RuntimeError):
	def __init__(self, username: str) -> None:
		super().__init__(f"request limit reached for {username}")
		self.username = username
