"""Blood donor registry application.

Identity, bearer tokens and role gating for a donor pool shared between
institutions, plus the models, services and views behind its API.
"""
