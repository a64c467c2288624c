"""AI generation services: model selection, generation client, error taxonomy."""
