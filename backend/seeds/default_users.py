"""Default staff accounts created on a fresh install.
(Data only; scripts/create_default_users.py applies it.)
Passwords come from SEED_ADMIN_PASSWORD / SEED_AGENT_PASSWORD at run time.
"""

DEFAULT_USERS = [
    {
        'username': 'admin',
        'email': 'admin@sigpe.local',
        'first_name': 'Administrateur',
        'last_name': 'SIGPE',
        'role': 'admin',
        'password_env': 'SEED_ADMIN_PASSWORD',
    },
    {
        'username': 'agent',
        'email': 'agent@sigpe.local',
        'first_name': 'Agent',
        'last_name': 'Regional',
        'role': 'agent',
        'type': 'regional',
        'region': 'Dakar',
        'password_env': 'SEED_AGENT_PASSWORD',
    },
]

DEFAULT_PASSWORD = 'ChangeMe123!'
