from p2plauncher.cli import main

raise SystemExit(main())
