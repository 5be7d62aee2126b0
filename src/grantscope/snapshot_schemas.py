"""
This file describes the expected schema for a snapshot file.
These schemas are used to validate snapshot and inventory files.
"""

SNAPSHOT_SCHEMA = """
    metadata:
        type: dict
        required: False
        schema:
            accountId:
                type: string
                required: True
            platform:
                type: string
                allowed:
                    - snowflake
                    - unspecified
            version:
                type: integer
            lastSyncedMs:
                type: integer
            compressRecords:
                type: boolean

    roleGrants:
        type: dict
        required: False
        keysrules:
            type: string
        valuesrules:
            type: dict
            keysrules:
                type: string
                allowed:
                    - usage
                    - select
                    - insert
                    - update
                    - delete
                    - monitor
                    - future
            valuesrules:
                type: dict
                keysrules:
                    type: string
                    regex: '[a-z_ ]+'
                valuesrules:
                    type: list
                    schema:
                        type: string

    userGrants:
        type: dict
        required: False
        keysrules:
            type: string
        valuesrules:
            type: dict
            schema:
                roles:
                    type: list
                    required: True
                    schema:
                        type: string

    warehouses:
        type: dict
        required: False
        keysrules:
            type: string
        valuesrules:
            type: dict
            schema:
                name:
                    type: string
                size:
                    type: string
                    required: True
                auto_suspend:
                    type: integer
                    nullable: True
                    min: 0
    """

INVENTORY_OBJECT_SCHEMA = """
    name:
        type: string
        required: True
    kind:
        type: string
        required: True
    database:
        type: string
        required: True
        excludes: database_name
    database_name:
        type: string
        required: True
        excludes: database
    schema:
        type: string
        required: True
        excludes: schema_name
    schema_name:
        type: string
        required: True
        excludes: schema
    """
