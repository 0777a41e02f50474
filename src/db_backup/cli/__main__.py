import sys

from db_backup.cli import main

sys.exit(main())
