import math

EARTH_RADIUS_KM = 6371.0088


# NOTE:
# 距離は厳密な大円距離ではなく、正距円筒の簡易計算。
# 検索半径 2km 程度なら十分な精度
def flat_distance_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    x = math.radians(lng2 - lng1) * math.cos(math.radians((lat1 + lat2) / 2))
    y = math.radians(lat2 - lat1)
    return math.sqrt(x * x + y * y) * EARTH_RADIUS_KM
