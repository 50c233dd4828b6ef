def validate_id(id: int, name: str = "ID") -> None:
    if id is None or isinstance(id, bool) or not isinstance(id, int) or id <= 0:
        raise ValueError(f"{name} ID must be a positive integer")
