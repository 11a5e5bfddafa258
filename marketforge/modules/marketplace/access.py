"""
Product access rules for marketplace downloads.

A user may download a product when they hold an entitlement for it (one-off
purchase) or an active subscription to the series attached to it.
"""

from ...core.supabase_client import get_supabase


def user_has_product_access(user_id, product_id):
    if not user_id or not product_id:
        return False

    supabase = get_supabase()

    entitlements = (
        supabase.table('entitlements')
        .select('id')
        .eq('user_id', user_id)
        .eq('product_id', product_id)
        .limit(1)
        .execute()
    )
    if entitlements.data:
        return True

    series = (
        supabase.table('series')
        .select('id')
        .eq('product_id', product_id)
        .execute()
    )
    series_ids = [row['id'] for row in series.data or []]
    if not series_ids:
        return False

    subscriptions = (
        supabase.table('subscriptions')
        .select('id')
        .eq('user_id', user_id)
        .in_('series_id', series_ids)
        .eq('status', 'active')
        .limit(1)
        .execute()
    )
    return bool(subscriptions.data)
