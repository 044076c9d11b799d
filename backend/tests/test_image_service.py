import random
import threading
import pytest
from services.image_service import (
    GENERIC_URLS, SPECIAL_CASES, TOPIC_BUCKETS, ImageService, TopicBucket, rank_buckets, score_bucket,
)

def bucket(name, keywords, count):
    return TopicBucket(name, tuple(keywords), tuple(f"https://img.test/{name}/{i}.png" for i in range(count)))

@pytest.fixture
def service():
    return ImageService(rng=random.Random(7))

def test_phrases_weigh_double():
    b = bucket("energy", ("energy", "renewable energy"), 1)
    assert score_bucket(b, "renewable energy sources") == 3
    assert score_bucket(b, "energy") == 1
    assert score_bucket(b, "nothing here") == 0

def test_ranking_prefers_higher_score_and_keeps_declared_order_on_ties():
    first = bucket("first", ("apple",), 1)
    second = bucket("second", ("apple",), 1)
    third = bucket("third", ("apple", "pear"), 1)
    ranked = rank_buckets("Apple and pear", (first, second, third))
    assert [b.name for b, _ in ranked] == ["third", "first", "second"]

def test_unrelated_buckets_are_not_candidates():
    assert rank_buckets("zzz qqq", TOPIC_BUCKETS) == []

def test_renewable_energy_matches_energy_bucket():
    ranked = rank_buckets("High quality image about Solar Power related to Renewable Energy")
    assert ranked[0][0].name == "energy"

def test_distinct_urls_while_supply_lasts():
    candidates = bucket("tech", ("robot",), 6)
    service = ImageService(buckets=(candidates,), rng=random.Random(1))
    used = set()
    urls = [service.resolve("robot arm", used) for _ in range(6)]
    assert len(set(urls)) == 6
    assert used == set(candidates.urls)

def test_exhausted_bucket_reuses_instead_of_failing():
    candidates = bucket("tech", ("robot",), 2)
    service = ImageService(buckets=(candidates,), rng=random.Random(1))
    used = set()
    urls = [service.resolve("robot", used) for _ in range(5)]
    assert set(urls) == set(candidates.urls)
    assert len(used) == 2

def test_next_ranked_bucket_used_when_top_is_exhausted():
    top = bucket("top", ("robot", "robot arm"), 1)
    runner_up = bucket("runner", ("arm",), 2)
    service = ImageService(buckets=(top, runner_up), rng=random.Random(3))
    used = set()
    assert service.resolve("robot arm", used) == top.urls[0]
    assert service.resolve("robot arm", used) in runner_up.urls

def test_reuse_comes_from_highest_scoring_bucket():
    top = bucket("top", ("robot", "robot arm"), 1)
    runner_up = bucket("runner", ("arm",), 1)
    service = ImageService(buckets=(top, runner_up), rng=random.Random(3))
    used = set()
    service.resolve("robot arm", used)
    service.resolve("robot arm", used)
    assert service.resolve("robot arm", used) == top.urls[0]

def test_operating_system_override(service):
    special_url = SPECIAL_CASES[0][1]
    assert service.resolve("Comparing os kernels", set()) == special_url
    assert service.resolve("An operating system diagram", set()) == special_url

def test_generic_fallback_prefers_unused_then_reuses(service):
    used = set()
    urls = [service.resolve("zzz qqq", used) for _ in range(len(GENERIC_URLS))]
    assert sorted(urls) == sorted(GENERIC_URLS)
    assert service.resolve("zzz qqq", used) in GENERIC_URLS

def test_every_result_is_recorded(service):
    used = set()
    url = service.resolve("", used)
    assert url in used

def test_bucket_tables_are_well_formed():
    names = [b.name for b in TOPIC_BUCKETS]
    assert len(names) == len(set(names))
    for b in TOPIC_BUCKETS:
        assert len(b.urls) >= 5
        assert len(set(b.urls)) == len(b.urls)
        assert all(k == k.lower() for k in b.keywords)

def test_concurrent_resolution_keeps_urls_unique():
    candidates = bucket("tech", ("robot",), 8)
    service = ImageService(buckets=(candidates,))
    used = set()
    results = []
    results_lock = threading.Lock()

    def worker():
        url = service.resolve("robot", used)
        with results_lock:
            results.append(url)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(set(results)) == 8
