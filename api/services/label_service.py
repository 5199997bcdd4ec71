from api.services.data import load_registry
from labels.rules import classify_address


def get_labels():
    registry = load_registry()
    return {
        addr: {"name": lb.name, "custodial": lb.custodial, "kind": classify_address(addr, registry)}
        for addr, lb in registry.items()
    }
