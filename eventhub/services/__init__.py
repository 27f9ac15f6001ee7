"""Domain logic that sits between the repositories and the ORM."""
