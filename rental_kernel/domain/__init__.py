"""Pure domain layer: statuses, calendar math, DTOs, events, validation."""
