from graphslick.main import main

raise SystemExit(main())
