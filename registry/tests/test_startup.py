import os
import subprocess
import sys
import textwrap

from django.conf import settings

FIRST_REQUEST = textwrap.dedent("""
    import django
    django.setup()
    from django.test import Client
    r = Client().get('/api/donors')
    print(r.status_code)
""")


def test_first_request_in_fresh_process_routes():
    # nothing from the project is imported before the first request
    env = {**os.environ, 'DJANGO_SETTINGS_MODULE': 'bloodbank.settings', 'ALLOWED_HOSTS': 'testserver',
           'ENV': 'dev'}
    env['PYTHONPATH'] = os.pathsep.join(p for p in (str(settings.BASE_DIR), env.get('PYTHONPATH')) if p)
    proc = subprocess.run([sys.executable, '-c', FIRST_REQUEST], cwd=settings.BASE_DIR, env=env,
                          capture_output=True, text=True, timeout=120)
    assert proc.returncode == 0, proc.stderr
    assert proc.stdout.strip().splitlines()[-1] == '401'
