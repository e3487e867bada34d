# funnel_builder/policies/funnel.py


class FunnelPolicy:
    """Who may do what with a funnel. Only the owner ever touches one."""

    @staticmethod
    def view(user, funnel) -> bool:
        return user is not None and user.id == funnel.user_id

    @staticmethod
    def update(user, funnel) -> bool:
        return user is not None and user.id == funnel.user_id

    @staticmethod
    def delete(user, funnel) -> bool:
        return user is not None and user.id == funnel.user_id

    @classmethod
    def allows(cls, ability: str, user, funnel) -> bool:
        check = getattr(cls, ability, None)
        if check is None or ability == "allows":
            raise ValueError(f"Unknown funnel ability: {ability}")
        return check(user, funnel)
