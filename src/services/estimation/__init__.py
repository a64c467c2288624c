"""Material estimation: validation, prompting, streaming relay and orchestration."""
