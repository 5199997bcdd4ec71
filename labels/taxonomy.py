LABEL_TAXONOMY = {
    "exchange": {
        "source": "known",
        "description": "Known exchange or DEX pool endpoint; sales destination.",
        "rule": "address in EXCHANGE_ADDRESSES",
    },
    "custodial": {
        "source": "labels file",
        "description": "Custodial or locked wallet. Opaque boundary for provenance tracing.",
        "rule": "label.custodial is true, or label name contains CUSTODIAL_KEYWORD",
    },
    "labeled": {
        "source": "labels file",
        "description": "Named entity that unlabeled flows are attributed to.",
        "rule": "address has a non-custodial label",
    },
    "sink": {
        "source": "known",
        "description": "Null (mint/burn) or dead address; never traversed.",
        "rule": "address in SINK_ADDRESSES",
    },
    "unlabeled": {
        "source": "default",
        "description": "Pass-through hop for tracing.",
        "rule": "none of the above",
    },
}
