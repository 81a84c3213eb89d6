"""Query capabilities and providers for CDP position, oracle and venue state.

Use ``liqsim.data.provider_factory.create_queries`` to build a provider.
"""
