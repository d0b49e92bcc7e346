# View services.
#
# Each module composes data-access bindings into the view models the
# routers return:
#
#   feed_service     : feed page (paginated or by category) + sharing
#   session_service  : caller profile, role and admin flag
#   admin_service    : admin-panel gate and article management
#
# Service functions take a QueryClient as their first argument; the
# router layer obtains it from the ``get_query_client`` dependency.
