# Services package init
"""
Quorum Backend - Services Layer
===============================

What:  Business logic between routes (HTTP) and the database.

Service Inventory:
    - VoteStore (abstract): data access the vote/accept rules need
    - SqlAlchemyVoteStore: VoteStore over an AsyncSession (locks, score recompute)
    - VoteCoordinator: vote toggle/switch and answer acceptance rules
    - AnswerService: answer submission/listing, HTTP-facing vote and accept
    - QuestionService: question posting, feed, detail, view counting
    - NotificationService: in-app notifications
    - TaxonomyService: tag and category listings

The coordinator only talks to a VoteStore, so its rules are tested against an
in-memory store without a database.
"""
