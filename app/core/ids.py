import uuid


def gen_id(prefix: str) -> str:
    # Opaque, URL-safe ids such as adv_3f2c...; never reused
    return f"{prefix}_{uuid.uuid4().hex}"
