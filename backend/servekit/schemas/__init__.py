# Pydantic request/response models (API contracts, separate from ORM models)
