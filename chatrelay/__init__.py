"""chatrelay: resilient chat-model provider selection."""
