from vmtrace.cli import main

raise SystemExit(main())
