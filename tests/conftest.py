import pytest

from archimap.app.services.supabase import QueryResult, SupabaseClient, TableQuery


class FakeSupabase(SupabaseClient):
    """Supabase client that answers queries from canned per-table/per-function routes.

    A route is a ``QueryResult``, an exception instance to raise, or a callable
    taking the query and returning either of those. Unrouted queries return no rows.
    """

    def __init__(self, routes=None):
        super().__init__(base_url="https://project.supabase.co", api_key="anon-key")
        self.routes = dict(routes or {})
        self.queries = []

    async def execute(self, query):
        self.queries.append(query)
        outcome = self.routes.get(target_of(query), QueryResult(data=[]))
        if callable(outcome):
            outcome = outcome(query)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def queries_for(self, name):
        return [query for query in self.queries if target_of(query) == name]


def target_of(query):
    if isinstance(query, TableQuery):
        return query.table
    return query.function


@pytest.fixture
def fake_supabase():
    return FakeSupabase
