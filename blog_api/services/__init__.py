# Services package.
#
# Each module exposes a focused set of async functions that encapsulate
# business rules and database access for one concern:
#
#   token_service     refresh-token store (per-device sessions)
#   auth_service      signup, login, logout, token refresh, password reset
#   profile_service   own profile and password change
#   category_service  admin-managed categories
#   post_service      post CRUD and visibility policy
#   comment_service   threaded comments and paginated tree reads
#
# All service functions accept an AsyncSession as their first argument
# so that the router layer controls the transaction boundary via the
# ``get_db`` dependency.  They return ``ServiceResult`` values instead of
# raising for expected failures.
