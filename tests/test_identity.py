import random

from clicker.net.identity import client_ip, known_key, player_key


def test_header_wins_over_address():
    headers = {"x-client-id": "cat-42", "X-Forwarded-For": "198.51.100.1"}
    assert player_key(headers, "203.0.113.5", 0) == "cat-42"


def test_forwarded_first_hop_then_remote():
    headers = {"X-Forwarded-For": " 198.51.100.1 , 10.0.0.1"}
    assert client_ip(headers, "203.0.113.5") == "198.51.100.1"
    assert client_ip(headers, "203.0.113.5", trust_forwarded=False) == "203.0.113.5"
    assert player_key({}, "203.0.113.5", 0) == "203.0.113.5"


def test_blank_header_falls_through():
    assert known_key({"x-client-id": "   "}, "203.0.113.5") == "203.0.113.5"


def test_fallback_is_fresh_per_request():
    rng = random.Random(7)
    a = player_key({}, None, 1000, rng=rng)
    b = player_key({}, None, 1000, rng=rng)
    assert a.startswith("anon-1000-")
    assert a != b
    assert known_key({}, None) == ""
