"""StudyTrust core: enums, exceptions and schemas."""
