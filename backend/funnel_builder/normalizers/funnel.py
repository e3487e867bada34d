from funnel_builder.domain.document import load_content, load_settings


def _iso(ts):
    return ts.isoformat() if ts else None


def normalize_funnel_summary(funnel):
    return {
        "id": funnel.id,
        "name": funnel.name,
        "slug": funnel.slug,
        "status": funnel.status,
        "is_published": bool(funnel.is_published),
        "views": funnel.views or 0,
        "conversions": funnel.conversions or 0,
        "conversion_rate": float(funnel.conversion_rate or 0),
        "updated_at": _iso(funnel.updated_at),
    }


def normalize_funnel(funnel, include_content=True):
    data = normalize_funnel_summary(funnel)
    data.update({
        "description": funnel.description or "",
        "settings": load_settings(funnel.settings),
        "published_at": _iso(funnel.published_at),
        "created_at": _iso(funnel.created_at),
    })

    if include_content:
        data["content"] = load_content(funnel.content)

    return data


def normalize_stats(total_funnels, total_views, total_conversions, avg_conversion_rate):
    return {
        "total_funnels": int(total_funnels or 0),
        "total_views": int(total_views or 0),
        "total_conversions": int(total_conversions or 0),
        "avg_conversion_rate": round(float(avg_conversion_rate or 0), 2),
    }
