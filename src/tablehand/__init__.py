"""tablehand: chat-driven assistant for an Airtable CRM."""
