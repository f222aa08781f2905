from core.ai.fingerprint import ranking_fingerprint, user_cluster_key, job_set_key
from tests.mocks.ranking_mocks import make_job, make_user


def test_job_order_does_not_matter():
    jobs = [make_job("a"), make_job("b"), make_job("c")]
    user = make_user()
    assert ranking_fingerprint(jobs, user) == ranking_fingerprint(list(reversed(jobs)), user)


def test_same_cluster_shares_fingerprint():
    jobs = [make_job("a"), make_job("b")]
    ada = make_user(email="ada@example.com", cities=("London",), career_path="tech")
    bob = make_user(email="bob@example.com", cities=("london",), career_path="Tech & Engineering")
    assert user_cluster_key(ada) == user_cluster_key(bob)
    assert ranking_fingerprint(jobs, ada) == ranking_fingerprint(jobs, bob)


def test_different_cluster_or_jobs_differ():
    jobs = [make_job("a"), make_job("b")]
    london = make_user(cities=("London",))
    paris = make_user(cities=("Paris",))
    assert ranking_fingerprint(jobs, london) != ranking_fingerprint(jobs, paris)
    assert ranking_fingerprint(jobs, london) != ranking_fingerprint(jobs[:1], london)


def test_cluster_key_defaults():
    user = make_user(cities=(), career_path="")
    assert user_cluster_key(user) == "anywhere|exploring"
    assert job_set_key([]) == ""
