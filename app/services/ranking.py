def sort_by_distance(items: list[dict]) -> list[dict]:
    # sorted は安定ソートなので、同距離なら API の返却順を保つ
    return sorted(items, key=lambda x: x["distance_km"])


def select_nearest(items: list[dict], limit: int = 3) -> list[dict]:
    return sort_by_distance(items)[:limit]
