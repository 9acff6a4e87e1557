from anisync.core.decoder import decode_provider_id, split_pairs
from anisync.core.link_resolver import is_provider_token

def test_decode_clock_path_gets_json_suffix():
    # 17 5b 54 57 5b 53 -> "/clock"
    assert decode_provider_id("175b54575b53") == "/clock.json"

def test_decode_mapped_pairs():
    # 17 59 48 51 -> "/api"
    assert decode_provider_id("17594851") == "/api"
    assert decode_provider_id("090a0b") == "123"

def test_decode_unmapped_pairs_pass_through():
    assert decode_provider_id("zz17") == "zz/"
    assert decode_provider_id("") == ""

def test_decode_drops_trailing_odd_character():
    assert split_pairs("17a") == ["17"]
    assert decode_provider_id("17a") == "/"
    assert decode_provider_id("5") == ""

def test_decode_is_deterministic():
    token = "175b54575b5307"
    first = decode_provider_id(token)
    assert first == "/clock.json?"
    assert all(decode_provider_id(token) == first for _ in range(5))

def test_provider_token_needs_digit_at_index_two():
    assert is_provider_token("--175b54575b53")
    assert not is_provider_token("https://embed.example/e/1")
    assert not is_provider_token("--")
    assert not is_provider_token("--x175b")
