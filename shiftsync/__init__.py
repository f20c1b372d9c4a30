"""Scrape a partner work schedule and keep a dedicated Google Calendar in sync with it."""
