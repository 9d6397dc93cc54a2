"""Well-known Go standard library signatures used for type classification.

Keys are ``pkg.Func`` for package functions and ``pkg.Type.Method`` for
methods (receiver written without the pointer star).
"""

from typing import Dict, FrozenSet, Tuple

KNOWN_FUNCTIONS: Dict[str, Tuple[str, ...]] = {
    # os
    "os.Open": ("*os.File", "error"),
    "os.Create": ("*os.File", "error"),
    "os.OpenFile": ("*os.File", "error"),
    "os.CreateTemp": ("*os.File", "error"),
    "os.ReadFile": ("[]byte", "error"),
    "os.WriteFile": ("error",),
    "os.Remove": ("error",),
    "os.RemoveAll": ("error",),
    "os.Mkdir": ("error",),
    "os.MkdirAll": ("error",),
    "os.Chdir": ("error",),
    "os.Getwd": ("string", "error"),
    "os.Getenv": ("string",),
    "os.LookupEnv": ("string", "bool"),
    "ioutil.ReadFile": ("[]byte", "error"),
    "ioutil.ReadAll": ("[]byte", "error"),
    "ioutil.TempFile": ("*os.File", "error"),
    "io.ReadAll": ("[]byte", "error"),
    "io.Copy": ("int64", "error"),
    # errors / fmt
    "errors.New": ("error",),
    "errors.Join": ("error",),
    "errors.Unwrap": ("error",),
    "fmt.Errorf": ("error",),
    "fmt.Sprintf": ("string",),
    "fmt.Sprint": ("string",),
    "fmt.Sprintln": ("string",),
    "fmt.Println": ("int", "error"),
    "fmt.Printf": ("int", "error"),
    "fmt.Fprintf": ("int", "error"),
    # database/sql
    "sql.Open": ("*sql.DB", "error"),
    # net
    "net.Dial": ("net.Conn", "error"),
    "net.DialTimeout": ("net.Conn", "error"),
    "net.Listen": ("net.Listener", "error"),
    "tls.Dial": ("*tls.Conn", "error"),
    # net/http
    "http.Get": ("*http.Response", "error"),
    "http.Post": ("*http.Response", "error"),
    "http.Head": ("*http.Response", "error"),
    "http.NewRequest": ("*http.Request", "error"),
    "http.NewRequestWithContext": ("*http.Request", "error"),
    # compression / archives
    "gzip.NewReader": ("*gzip.Reader", "error"),
    "gzip.NewWriter": ("*gzip.Writer",),
    "zip.OpenReader": ("*zip.ReadCloser", "error"),
    # encoding / strconv
    "json.Marshal": ("[]byte", "error"),
    "json.MarshalIndent": ("[]byte", "error"),
    "json.Unmarshal": ("error",),
    "strconv.Atoi": ("int", "error"),
    "strconv.ParseInt": ("int64", "error"),
    "strconv.ParseFloat": ("float64", "error"),
    "strconv.ParseBool": ("bool", "error"),
    "url.Parse": ("*url.URL", "error"),
    "time.Parse": ("time.Time", "error"),
    "exec.Command": ("*exec.Cmd",),
}

KNOWN_METHODS: Dict[str, Tuple[str, ...]] = {
    "sql.DB.Query": ("*sql.Rows", "error"),
    "sql.DB.QueryContext": ("*sql.Rows", "error"),
    "sql.DB.QueryRow": ("*sql.Row",),
    "sql.DB.QueryRowContext": ("*sql.Row",),
    "sql.DB.Exec": ("sql.Result", "error"),
    "sql.DB.ExecContext": ("sql.Result", "error"),
    "sql.DB.Prepare": ("*sql.Stmt", "error"),
    "sql.DB.PrepareContext": ("*sql.Stmt", "error"),
    "sql.DB.Begin": ("*sql.Tx", "error"),
    "sql.DB.BeginTx": ("*sql.Tx", "error"),
    "sql.DB.Conn": ("*sql.Conn", "error"),
    "sql.DB.Ping": ("error",),
    "sql.DB.Close": ("error",),
    "sql.Tx.Query": ("*sql.Rows", "error"),
    "sql.Tx.Exec": ("sql.Result", "error"),
    "sql.Tx.Prepare": ("*sql.Stmt", "error"),
    "sql.Tx.Commit": ("error",),
    "sql.Tx.Rollback": ("error",),
    "sql.Stmt.Query": ("*sql.Rows", "error"),
    "sql.Stmt.Exec": ("sql.Result", "error"),
    "sql.Rows.Scan": ("error",),
    "sql.Rows.Err": ("error",),
    "sql.Rows.Close": ("error",),
    "sql.Row.Scan": ("error",),
    "http.Client.Do": ("*http.Response", "error"),
    "http.Client.Get": ("*http.Response", "error"),
    "http.Client.Post": ("*http.Response", "error"),
    "os.File.Close": ("error",),
    "os.File.Write": ("int", "error"),
    "os.File.WriteString": ("int", "error"),
    "os.File.Read": ("int", "error"),
    "os.File.Sync": ("error",),
    "os.File.Stat": ("os.FileInfo", "error"),
    "net.Listener.Accept": ("net.Conn", "error"),
    "net.Conn.Write": ("int", "error"),
    "net.Conn.Read": ("int", "error"),
    "exec.Cmd.Run": ("error",),
    "exec.Cmd.Output": ("[]byte", "error"),
    "exec.Cmd.CombinedOutput": ("[]byte", "error"),
    "exec.Cmd.StdoutPipe": ("io.ReadCloser", "error"),
}

KNOWN_FIELDS: Dict[str, str] = {
    "http.Response.Body": "io.ReadCloser",
    "http.Request.Body": "io.ReadCloser",
}

BUILTIN_RESULTS: Dict[str, Tuple[str, ...]] = {
    "len": ("int",),
    "cap": ("int",),
    "recover": ("any",),
}

# Types (pointer star removed) that expose Close().
KNOWN_CLOSERS: FrozenSet[str] = frozenset({
    "os.File",
    "sql.DB",
    "sql.Rows",
    "sql.Stmt",
    "sql.Conn",
    "net.Conn",
    "net.Listener",
    "net.TCPConn",
    "net.UDPConn",
    "net.TCPListener",
    "tls.Conn",
    "gzip.Reader",
    "gzip.Writer",
    "zip.ReadCloser",
    "io.Closer",
    "io.ReadCloser",
    "io.WriteCloser",
    "io.ReadWriteCloser",
})

FAILURE_TYPES: FrozenSet[str] = frozenset({"error"})
